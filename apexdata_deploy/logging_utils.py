import logging
import sys


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(verbosity: int = 0) -> None:
    """
    기본은 WARNING. 콘솔의 [INFO]/[SUCCESS] 출력과 섞이지 않도록
    로그는 stderr 로만 보낸다. -v 는 INFO, -vv 이상은 실행 명령까지 DEBUG 로 출력.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
