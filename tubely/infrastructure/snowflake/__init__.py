"""
Snowflake persistence for video records.
"""
