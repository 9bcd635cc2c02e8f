"""Configuration and logging setup shared by the API and scripts."""
