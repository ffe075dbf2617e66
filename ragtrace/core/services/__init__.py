"""Application services: the pipeline and its building blocks."""
