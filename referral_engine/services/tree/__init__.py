"""
Referral tree reads: display snapshots and integrity audit.
"""

from referral_engine.services.tree.audit import TreeAuditService
from referral_engine.services.tree.materializer import (
    ReferralTreeMaterializer,
    TreeNode,
)


__all__ = [
    "ReferralTreeMaterializer",
    "TreeAuditService",
    "TreeNode",
]
