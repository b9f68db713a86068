"""Observer console: wire models, fan-out hub and command dispatch."""
