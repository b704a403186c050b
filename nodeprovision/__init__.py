"""Node provisioning building blocks: object model, resource quantities, bin packing, batching windows, rate-limited work queues and scheduling predicates."""

__version__ = "0.1.0"