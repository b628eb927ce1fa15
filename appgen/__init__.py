"""appgen: scaffolds new Rails applications from the command line."""

__version__ = "0.1.0"
