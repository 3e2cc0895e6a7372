"""Per-user conversation memory (working set, last filters, last action) with a TTL."""
