"""End-to-end CLI tests that run envguard against temporary configuration directories."""
