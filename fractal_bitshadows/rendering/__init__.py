"""Color sources and render hosts for generated trees."""
