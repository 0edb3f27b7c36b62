import sys


def error_message_detail(error, error_detail=None) -> str:
    """
    Builds a message carrying the file and line where the active exception was raised.
    Falls back to the plain message when there is no active traceback.
    """
    if error_detail is None:
        return str(error)

    _, _, exc_tb = error_detail.exc_info()
    if exc_tb is None:
        return str(error)

    while exc_tb.tb_next is not None:
        exc_tb = exc_tb.tb_next
    file_name = exc_tb.tb_frame.f_code.co_filename
    return "Error occurred in python script [{0}] line [{1}]: {2}".format(
        file_name, exc_tb.tb_lineno, str(error)
    )


class CustomException(Exception):
    def __init__(self, error_message, error_detail=None):
        super().__init__(str(error_message))
        self.error_message = error_message_detail(error_message, error_detail=error_detail)

    def __str__(self):
        return self.error_message


class InvalidImage(CustomException):
    """Source bytes could not be decoded as an image."""


class ProcessingUnavailable(CustomException):
    """The imaging backend (Pillow) is not usable in this runtime."""


__all__ = ["CustomException", "InvalidImage", "ProcessingUnavailable", "error_message_detail"]
