"""
tsp_app/data - where points come from.

Public API:
    load_points_csv()  - header-first "x,y" file → List[Point]
    random_points()    - uniform random instance
    save_route()       - write a route as 1-based city numbers
"""

from tsp_app.data.points import load_points_csv, random_points, save_route

__all__ = ["load_points_csv", "random_points", "save_route"]
