"""HTTP API: routers, schemas and request dependencies"""
