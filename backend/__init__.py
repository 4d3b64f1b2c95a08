"""
Remiss network backend
FastAPI service for co-occurrence compute and network reads
"""
