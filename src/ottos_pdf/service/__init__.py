"""Services reacting to print jobs."""
