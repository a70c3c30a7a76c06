"""Feature database access, location resolution and span merging."""
