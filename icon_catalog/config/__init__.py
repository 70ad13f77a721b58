"""Configuration loading, logging setup and cache wiring."""
