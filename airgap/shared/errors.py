class ProbeDataError(RuntimeError):
    """Нет ни одной пригодной строки щупа: дальше считать нечего."""


class FileRoutingError(ValueError):
    """Набор файлов не раскладывается на одну выгрузку щупа + листы приспособления."""
