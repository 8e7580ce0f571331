"""JSON/CSV data exports."""
