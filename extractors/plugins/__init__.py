# Extractor plugins. Each module here is loaded by file path and keyed by its
# file name; see extractors.loader.resolve_entry_point for the contract.
