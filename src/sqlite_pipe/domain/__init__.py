"""Domain layer - protocol logic independent of any process or library."""
