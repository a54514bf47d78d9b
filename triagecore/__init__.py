"""Clinical triage and provider-matching decision core."""

__version__ = "0.1.0"
