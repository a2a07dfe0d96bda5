"""Small helpers shared across eventproc subpackages."""
