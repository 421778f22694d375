"""ProofVault: proof-of-existence certification and retrieval.

Certifies files by digest, stores them in content-addressed storage, anchors
the proof in a registry, tracks the storage deals behind the content, and
notifies subscribed webhooks of every step.
"""

__version__ = "0.1.0"
__description__ = "Proof-of-existence certification over content-addressed storage"

from proofvault.core.orchestrator import CertificationOrchestrator

__all__ = ["CertificationOrchestrator", "__version__"]
