"""
Service layer for Nekovilo.

- **rule_admin_service.py**: Validated create/delete/list operations on trigger
  rules. Every successful mutation forces a full trigger cache reload.
"""
