"""Human-in-the-loop approval broker for shell command execution."""
