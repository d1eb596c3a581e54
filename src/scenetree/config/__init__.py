from .options import BuildOptions, load_options

__all__ = ["BuildOptions", "load_options"]
