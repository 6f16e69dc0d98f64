"""
HTTP façade for the PS99 API mirror.

Serves records written by the sync pipeline from Firestore, reassembling
chunked records and caching responses per app instance.
"""
