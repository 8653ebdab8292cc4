""" torch-manifold: manifold descriptions for finite-element mesh refinement """

from . import core

__all__ = ["core"]
