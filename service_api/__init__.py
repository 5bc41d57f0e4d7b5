"""
API Service package: HTTP façade over DynamoDB, S3 and Redis.
"""
