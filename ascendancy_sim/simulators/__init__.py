"""Battle resolution and Monte Carlo aggregation."""
