"""Vehicle route and driver roster optimizer."""
