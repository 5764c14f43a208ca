"""Data model, constants and errors shared by the uploader packages."""
