"""Core data types and pure algorithms: versions, resources, compilation."""
