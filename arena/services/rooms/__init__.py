"""Room lifecycle: connections, membership, timers, scoring and finalization."""
