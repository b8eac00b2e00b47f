ERRORS = {
  "E_HEADER_WIRE": "Header block violates the wire schema",
  "E_DATA_WIRE": "Data block violates the wire schema",
  "E_FEATURE_UNSUPPORTED": "Header requires an unsupported feature",
  "E_ALIGNMENT": "Parallel field arrays differ in length",
  "E_DENSE_TAGS": "Dense node tag stream is malformed",
  "E_STRING_INDEX": "Tag string index not in string table",
  "E_BLOB_WIRE": "Blob or BlobHeader violates the wire schema",
  "E_BLOB_SIZE": "Blob size does not match its declaration",
  "E_BLOB_UNSUPPORTED": "Blob compression not supported",
  "E_BLOCK_SIZE": "Block exceeds the format size limit",
  "E_TIMESTAMP_RANGE": "Timestamp outside the representable date range",
}


class FormatError(ValueError):
    """Malformed or schema-violating bytes in a PBF block.

    Always fatal to the block being processed. The underlying decoding
    failure, if any, is chained as ``__cause__``.
    """

    def __init__(self, code: str, detail: str | None = None):
        self.code = code
        self.detail = detail
        message = ERRORS[code]
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
