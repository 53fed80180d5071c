"""Account lifecycle service for the streaming platform."""
