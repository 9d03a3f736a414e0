"""
Back-office modules.

Thin glue over the calculation engines, one subpackage per business area:

- revenue: recognition entry workflow, config, reporting helpers, service
- consolidation: config and service for multi-entity consolidation

Modules may import backoffice_engines and backoffice_kernel, never
backoffice_config.
"""
