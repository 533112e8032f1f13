"""Application layer for npmcache."""
