"""
Analysis package for the Regional Statistics Map

Rendering of the joined and classified region records: interactive map,
bar charts and web GeoJSON.
"""
