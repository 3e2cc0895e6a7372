"""Optional LLM fallback for open-ended conversational messages (read-only)."""
