"""Configuration and clock helpers shared across reminderbot_lite."""
