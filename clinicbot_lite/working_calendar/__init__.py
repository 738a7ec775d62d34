"""Working-calendar integration: service clients and the working-day filter."""
