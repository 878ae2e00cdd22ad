"""Game rules and session orchestration."""
