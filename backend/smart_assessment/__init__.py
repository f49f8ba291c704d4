"""Smart Assessment backend: subjects, outline editing and AI-assisted grading."""

__version__ = "0.1.0"
