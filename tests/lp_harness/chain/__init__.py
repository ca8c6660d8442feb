"""Chain-side tests."""
