"""Account lifecycle and linkage rules."""
