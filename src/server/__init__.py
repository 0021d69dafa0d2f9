"""HTTP adapter exposing edutree hierarchies."""
