"""Directives — the desired bundle set, declared as comments in the vimrc.

Three directive kinds are recognized::

    " Bundle: https://github.com/tpope/vim-fugitive.git
    " Bundle: https://github.com/scrooloose/nerdtree.git 5.0.0
    " Bundle-Command: make
    " Static: my-local-plugin
"""

from bundlesync.directives.models import BundleDirective, bundle_name_from_url
from bundlesync.directives.parser import load_directives, parse_directives

__all__ = ["BundleDirective", "bundle_name_from_url", "load_directives", "parse_directives"]
