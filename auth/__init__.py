"""auth/ -- Authentication and authorization package for JobBoard.

Layer rule: auth/ imports from core/ and third-party libraries only.
It does NOT import from api/ or jobs/.
api/ imports from auth/, not the other way around.
"""
