"""Law document comment intake and moderation API."""
