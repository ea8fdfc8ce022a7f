
class LfeIncludeError(Exception):
    """ Base class for all lfe_include errors"""
    pass

class ErlangSyntaxError(LfeIncludeError):
    """ Raised when Erlang source cannot be scanned, preprocessed or parsed"""

    def __init__(self, reason, line: int = 0):
        super().__init__(reason)
        self.reason = reason
        self.line = line

class TranslationError(LfeIncludeError):
    """ Raised when an Erlang construct has no LFE translation"""

class LfeSyntaxError(LfeIncludeError):
    """ Raised when LFE source cannot be read"""

class NoLibraryError(LfeIncludeError):
    """ Raised when a library name cannot be mapped to a directory"""

class MacroExpansionError(LfeIncludeError):
    """ Raised when no clause of a translated macro matches its arguments"""
