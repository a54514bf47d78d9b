"""Triage classification and specialty routing."""
