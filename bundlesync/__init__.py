"""bundlesync — keep a directory of vim bundles in step with your vimrc."""

__version__ = "0.3.0"
