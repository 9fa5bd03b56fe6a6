"""Pydantic models shared by aco_tsp and tsp_app."""
