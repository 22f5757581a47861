"""
Newsroom Modules
================

- auth:       login through the external auth API, local accounts, access tokens
- news:       news CRUD, soft delete lifecycle and uploads
- webs_views: validated passthrough of the external webs-views resource
- images:     image proxy and raw storage passthrough
"""
