"""Policy subpackage - cancellation and price boost rules."""
