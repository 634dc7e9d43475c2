"""Exercise bulk import API for the fitness catalog admin console."""
