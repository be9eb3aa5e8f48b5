"""Services: import validation, importing and the admin import pipeline."""
