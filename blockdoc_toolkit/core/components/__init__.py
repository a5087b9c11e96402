"""Built-in component definitions and their command vocabularies."""
