"""courierkit application layer: state stores and the entry point."""
