"""In-memory development relay speaking the room chat wire protocol."""
