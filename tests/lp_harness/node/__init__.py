"""Node-side tests."""
