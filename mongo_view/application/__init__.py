"""Application layer: query guard and HTTP surface."""
