"""Cloud provider integrations."""
