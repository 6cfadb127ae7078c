class RenderError(Exception):
    """Raised when a document cannot be rendered for download."""
