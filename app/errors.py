"""
Error kinds surfaced to the user. Each carries a short message safe to show in the UI.
"""


class TurjumanError(Exception):
    user_message = "Something went wrong."

    def __init__(self, detail: str = "", *, user_message: str = "") -> None:
        super().__init__(detail or user_message or self.user_message)
        if user_message:
            self.user_message = user_message


class UnsupportedTypeError(TurjumanError):
    user_message = "Please upload a PDF file."


class ReadError(TurjumanError):
    user_message = "Error reading file."


class FileTooLargeError(ReadError):
    user_message = "The PDF is too large."


class RequestError(TurjumanError):
    user_message = "Failed to process the PDF. Please try again."


class ResponseParseError(TurjumanError):
    user_message = "Failed to process the PDF content."
