"""Rich rendering for the Butler console CLI."""
