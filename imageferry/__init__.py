"""imageferry - copy Docker images to a remote host through an ephemeral registry"""

__version__ = "1.0.0"
