"""Source scripts: references, directives and transitive source sets."""
