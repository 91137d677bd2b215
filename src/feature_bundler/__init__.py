"""Bundle a feature (seed files plus their transitive references) into one artifact."""

__version__ = "0.1.0"
