"""Automatic placement of reminders into free calendar slots."""
