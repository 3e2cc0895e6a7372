"""Command routing: parsed queries -> read results or confirmation-pending mutations."""
