"""
Chain adapter base
"""

from dock402.x402.mechanisms._base.adapter import ChainAdapter, compare_proof_fields, parse_amount

__all__ = ["ChainAdapter", "compare_proof_fields", "parse_amount"]
