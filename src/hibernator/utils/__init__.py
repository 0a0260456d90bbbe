from hibernator.utils.confirm import confirm
from hibernator.utils.logging import logger
from hibernator.utils.shell import shell, shell_output, shell_success
from hibernator.utils.size import format_size, parse_size
