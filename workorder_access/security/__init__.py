"""Authorization gates, security events and the HTTP-facing security glue."""
