"""Console front end for healthmon."""
