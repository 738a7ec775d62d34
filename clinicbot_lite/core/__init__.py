"""Infrastructure shared by the engine: clock, configuration and HTTP client."""
