"""Static game content: the region catalogue, timer table and question banks.

The engine treats everything here as read-only reference data.
"""
