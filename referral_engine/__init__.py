"""
Binary referral compensation engine.

Places members into a shared binary tree, distributes purchase Business
Volume up the ancestor chain and materializes bounded tree views.
"""

__version__ = "0.1.0"
