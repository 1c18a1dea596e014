"""Luna: period tracking with explainable cycle insights."""
