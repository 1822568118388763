"""
Unit tests for DbCommand and DataReader against a mocked DB-API connection.
"""
import pytest
from dataaccess.cursor import DataReader, DbCommand
from dataaccess.exceptions import QueryError
from dataaccess.parameters import add_in_out_parameter, add_out_parameter
from dataaccess.parameters import add_parameter, add_return_parameter
from dataaccess.strategy import PostgresStrategy
from dataaccess.types import CommandType, ConnectionState


@pytest.fixture
def mock_cursor(mocker):
    cursor = mocker.Mock()
    cursor.description = [('total', 23, None, None, None, None, None),
                          ('counter', 23, None, None, None, None, None)]
    cursor.fetchone.return_value = (10, 2)
    cursor.rowcount = -1
    cursor.statusmessage = 'CALL'
    return cursor


@pytest.fixture
def connwrapper(mocker, mock_cursor):
    """Mocked open PostgreSQL connection wrapper"""
    conn = mocker.Mock()
    conn.state = ConnectionState.OPEN
    conn.strategy = PostgresStrategy()
    conn.dbapi_connection.cursor.return_value = mock_cursor
    return conn


def test_procedure_outputs(connwrapper, mock_cursor):
    """Test a procedure call is rendered and output values are written back"""
    command = DbCommand(connwrapper)
    command.command_type = CommandType.STORED_PROCEDURE
    command.command_text = 'calc'
    add_parameter(command, 'id', 5)
    total = add_out_parameter(command, 'total')
    counter = add_in_out_parameter(command, 'counter', 1)
    ret = add_return_parameter(command, 'RETURN_VALUE')

    command.execute_non_query()

    mock_cursor.execute.assert_called_once_with(
        'CALL calc(id => %(id)s, total => NULL, counter => %(counter)s)', {'id': 5, 'counter': 1})
    assert (total.value, counter.value, ret.value) == (10, 2, None)
    mock_cursor.close.assert_called_once()
    connwrapper.addcall.assert_called_once()


def test_text_without_markers_sends_no_params(connwrapper, mock_cursor):
    command = DbCommand(connwrapper)
    command.command_text = "SELECT 'a%'"

    assert command.execute_scalar() == 10
    mock_cursor.execute.assert_called_once_with("SELECT 'a%'")


def test_timeout_applied_and_cleared(connwrapper, mocker):
    """Test statement_timeout is set before the statement and reset after"""
    raw = connwrapper.dbapi_connection
    command = DbCommand(connwrapper)
    command.command_text = 'SELECT 1'
    command.command_timeout = 3

    command.execute_scalar()

    calls = [c.args[0] for c in raw.execute.call_args_list]
    assert calls == ["SELECT set_config('statement_timeout', %s, false)", 'RESET statement_timeout']


def test_timeout_kept_while_reader_open(connwrapper, mock_cursor):
    raw = connwrapper.dbapi_connection
    command = DbCommand(connwrapper)
    command.command_text = 'SELECT 1'
    command.command_timeout = 3

    reader = command.execute_reader()
    assert raw.execute.call_count == 1
    reader.close()

    assert raw.execute.call_count == 2
    mock_cursor.close.assert_called_once()


def test_closed_connection(connwrapper):
    connwrapper.state = ConnectionState.CLOSED
    command = DbCommand(connwrapper)
    command.command_text = 'SELECT 1'

    with pytest.raises(QueryError):
        command.execute_scalar()


def test_close_releases_open_readers(connwrapper, mock_cursor):
    command = DbCommand(connwrapper)
    command.command_text = 'SELECT 1'
    command.execute_reader()

    command.close()
    command.close()

    mock_cursor.close.assert_called_once()
    with pytest.raises(QueryError):
        command.execute_scalar()


class TestDataReader:

    def test_read_and_values(self, mock_cursor):
        mock_cursor.fetchone.side_effect = [(1, None), None]
        reader = DataReader(mock_cursor)

        assert reader.field_count == 2
        assert reader.read()
        assert reader.get_values() == (1, None)
        assert reader.is_null(1)
        assert reader.to_dict() == {'total': 1, 'counter': None}
        assert not reader.read()

    def test_ordinal_lookup(self, mock_cursor):
        reader = DataReader(mock_cursor)
        assert reader.get_ordinal('counter') == 1
        assert reader.get_ordinal('TOTAL') == 0
        with pytest.raises(IndexError):
            reader.get_ordinal('missing')

    def test_no_current_row(self, mock_cursor):
        with pytest.raises(QueryError):
            DataReader(mock_cursor).get_value(0)

    def test_no_result_set(self, mocker):
        cursor = mocker.Mock(description=None)
        assert not DataReader(cursor).read()

    def test_close_once(self, mock_cursor):
        reader = DataReader(mock_cursor)
        with reader:
            pass
        reader.close()
        mock_cursor.close.assert_called_once()
        with pytest.raises(QueryError):
            reader.read()
