"""Core configuration, cleanup engine and scheduling for expirefs."""
