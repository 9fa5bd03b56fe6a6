"""
tsp_app - the application layer around the aco_tsp core.

    tsp_app.shared.models  - Pydantic models shared with the core
    tsp_app.control_plane  - admission, observers, background runner
    tsp_app.data           - point loading and instance generation
    tsp_app.cli            - `aco-tsp` command-line entry point
"""
