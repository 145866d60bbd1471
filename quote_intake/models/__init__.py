"""Domain models: confidence-annotated fields, records and collection entities."""
