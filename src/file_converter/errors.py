class ConversionError(Exception):
    """Base class for every failure raised while converting a file."""


class UnsupportedConversion(ConversionError):
    def __init__(self, input_format: str, output_format: str) -> None:
        self.input_format = input_format
        self.output_format = output_format
        src = (input_format or "unknown").upper()
        super().__init__(f"Conversion from {src} to {output_format.upper()} is not supported")


class DecodeFailure(ConversionError):
    """Input bytes could not be parsed as the claimed format."""


class EncodeFailure(ConversionError):
    """A decoded image could not be written in the target format."""


class CompositionFailure(ConversionError):
    """Page layout or image embedding failed after a successful decode."""
