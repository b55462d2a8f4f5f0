"""Notifications app package.

Delivers in-app notifications and audit records for booking events.
Delivery is handed to Celery tasks so that a slow or failing sink never
holds up a booking transaction.
"""
