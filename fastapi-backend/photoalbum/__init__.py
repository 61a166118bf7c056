"""Photo album web service: uploads, gallery listing, file serving and deletion."""

__version__ = "1.0.0"
