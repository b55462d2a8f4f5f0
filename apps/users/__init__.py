"""Users app package.

Defines the portal user with roles, labs and lab membership. Use
``apps.users.models.CustomUser`` as the AUTH_USER_MODEL throughout
the project.
"""
