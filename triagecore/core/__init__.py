"""Decision pipeline: registry, validation, triage, matching and audit."""
