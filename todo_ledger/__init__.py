"""todo-ledger: a concurrency-safe, durable todo list for agent tool calls."""

__version__ = "0.1.0"
