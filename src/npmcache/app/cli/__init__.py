"""Command-line interface for npmcache."""
