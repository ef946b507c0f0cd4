class AvdLaunchException(BaseException):
    pass


class AvdConfigError(AvdLaunchException):
    pass


class AvdArgumentError(AvdConfigError):
    pass


class AvdInternalException(AvdLaunchException):
    pass


class NoAvailablePortError(AvdLaunchException):
    pass


class ToolError(AvdLaunchException):
    def __init__(self, message, diagnostics=None):
        """
        :type message: str
        :type diagnostics: list[str]
        """
        super(ToolError, self).__init__(message)
        self.diagnostics = diagnostics


class AdbError(ToolError):
    pass
