"""Pure date-math core: models, generation, classification and day queries."""
