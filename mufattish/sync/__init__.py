"""Tabular sync: normalization, schema catalog, row serializer and parser, file codecs."""
