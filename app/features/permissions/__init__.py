"""
Permission and audit feature module.

Decides who may act on A3 documents (organization, department and
authorship rules) and records the audit trail of document operations.
"""
