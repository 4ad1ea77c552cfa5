"""
Business logic services package.

Services hold the renewal rules between the API routes and the DAOs.
"""
