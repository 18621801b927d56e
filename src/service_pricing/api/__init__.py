"""API subpackage - HTTP surface for the pricing engine."""
