"""
Tournament Arena backend: tournament lifecycle and credit wallet ledger
"""
