"""
Command factory.
"""
import logging
from typing import Any

from dataaccess.exceptions import InvalidArgument
from dataaccess.parameters import add_parameters
from dataaccess.protocols import Command, Connection
from dataaccess.types import CommandSpec, CommandType

logger = logging.getLogger(__name__)


def ensure_connection(connection: Connection) -> None:
    """Raise InvalidArgument if `connection` is None."""
    if connection is None:
        raise InvalidArgument('The connection cannot be None')


def create_command(connection: Connection, command_text: str | CommandSpec,
                   command_type: CommandType = CommandType.STORED_PROCEDURE,
                   parameters: Any = None, timeout: int | None = None) -> Command:
    """Create a command ready to execute.

    Parameters are bound as inputs with default type and size; output and
    typed parameters are added with the binders in `dataaccess.parameters`
    on the returned command. The caller owns the command and must close it.

    Args:
        connection: Connection creating the command
        command_text: Stored procedure name, SQL text or a CommandSpec
        command_type: How the text is interpreted
        parameters: Mapping, dataclass or NamedTuple of parameter values
        timeout: Command timeout in seconds, driver default when None

    Raises
        InvalidArgument: If the connection is None or the command text is empty
    """
    ensure_connection(connection)
    spec = CommandSpec.of(command_text, command_type, parameters, timeout)

    command = connection.create_command()
    try:
        command.command_type = spec.command_type
        command.command_text = spec.text
        if spec.timeout is not None:
            command.command_timeout = spec.timeout
        if spec.parameters is not None:
            add_parameters(command, spec.parameters)
    except Exception:
        command.close()
        raise

    logger.debug(f'Created {spec.command_type.name.lower()} command {spec.text!r}')
    return command
