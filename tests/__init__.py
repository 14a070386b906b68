"""ModelRisk test suite."""
