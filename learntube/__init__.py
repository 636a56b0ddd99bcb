"""learntube - YouTube directory access layer for an educational video app."""
