"""
API package for the tech logo quiz backend.

Modules:
- config: environment-driven settings and database configuration
- db: MySQL stored-procedure gateway
- schemas: Pydantic models for the REST API
- main: FastAPI application and routes
- logging_config: process-wide logging setup
- run: uvicorn entrypoint
"""
