"""Mining pipeline stages."""
