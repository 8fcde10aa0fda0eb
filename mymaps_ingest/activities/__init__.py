"""Pipeline activities.

Each activity performs a single unit of work for one layer:
- fetch_source: Download the raw KML export of a dataset
- filter_features: Validate geometry and keep the valid subset
- fetch_media: Localise ``gx_media_links`` assets
- write_collection: Serialise the final FeatureCollection
"""
