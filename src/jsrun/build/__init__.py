"""Build surface: dependencies, projects and execution strategies."""
