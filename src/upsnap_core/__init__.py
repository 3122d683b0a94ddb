"""
upsnap_core
===========

This package provides the main entry point for the UpSnap core library: device status polling, Wake-on-LAN, remote shutdown and network scanning on top of an external record store.

Re-exports:
------------
- All public classes and functions from `upsnap_core.lib.core`.

Usage:
------
Import from this package to access the core API:

    from upsnap_core import UpSnapCore

See the documentation in `upsnap_core.lib.core` for details on available classes and methods.
"""

from upsnap_core.lib.core import *
