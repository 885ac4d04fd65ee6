"""sbctool command-line interface."""
