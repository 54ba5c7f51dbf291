"""Command handlers for the gpdev CLI, one module per command group."""
