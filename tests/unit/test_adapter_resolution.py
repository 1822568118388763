import pytest
from dataaccess import adapter as adapter_module
from dataaccess.adapter import DataAdapter, PostgresDataAdapter, SQLiteDataAdapter
from dataaccess.adapter import create_data_adapter, register_provider_factory
from dataaccess.adapter import resolve_adapter, unregister_provider_factory
from dataaccess.connection import connect
from dataaccess.exceptions import InvalidArgument, UnsupportedDriver
from dataaccess.parameters import add_parameter
from dataaccess.types import DbType, ParameterCollection
from tests.fixtures.fakes import FakeConnection


class CustomAdapter(DataAdapter):
    pass


class AppendOnlyParameters(ParameterCollection):
    """Parameter collection that cannot be emptied."""

    def clear(self):
        raise AttributeError('clear')


class SelfServingConnection(FakeConnection):
    """Connection that builds its own adapter."""

    def create_data_adapter(self):
        return CustomAdapter(self)


class DriverProviderFactory:

    def __init__(self, connection):
        self.connection = connection

    def create_data_adapter(self):
        return CustomAdapter(self.connection)


class HookedConnection(FakeConnection):
    pass


class HookedSubclassConnection(HookedConnection):
    pass


@pytest.fixture
def hooked():
    register_provider_factory(HookedConnection, DriverProviderFactory)
    yield
    unregister_provider_factory(HookedConnection)


@pytest.fixture
def sqlite_cn(tmp_path):
    return connect(drivername='sqlite', database=str(tmp_path / 'adapter.db'))


@pytest.fixture
def postgres_cn():
    return connect(drivername='postgresql', hostname='localhost', username='u',
                   password='p', database='db', port=5432)


def test_builtin_sqlite(sqlite_cn):
    adapter = resolve_adapter(sqlite_cn)
    assert type(adapter) is SQLiteDataAdapter
    assert adapter.connection is sqlite_cn


def test_builtin_postgres(postgres_cn):
    """Test resolution does not connect to the server"""
    assert type(resolve_adapter(postgres_cn)) is PostgresDataAdapter


def test_builtin_never_consults_hooks(mocker, sqlite_cn, postgres_cn):
    """Test built-in connections resolve without the provider hook registry"""
    spy = mocker.spy(adapter_module, '_provider_factory_for')

    resolve_adapter(sqlite_cn)
    resolve_adapter(postgres_cn)

    spy.assert_not_called()


def test_self_serving_connection():
    cn = SelfServingConnection()
    adapter = resolve_adapter(cn)
    assert isinstance(adapter, CustomAdapter)
    assert adapter.connection is cn


def test_registered_hook(hooked):
    cn = HookedConnection()
    adapter = resolve_adapter(cn)
    assert isinstance(adapter, CustomAdapter)
    assert adapter.connection is cn


def test_hook_found_along_mro(hooked):
    """Test subclasses of a registered connection type use its hook"""
    assert isinstance(resolve_adapter(HookedSubclassConnection()), CustomAdapter)


def test_unknown_driver_names_type():
    """Test the error carries and names the concrete connection type"""
    with pytest.raises(UnsupportedDriver) as exc_info:
        resolve_adapter(FakeConnection())

    assert exc_info.value.connection_type is FakeConnection
    assert 'FakeConnection' in str(exc_info.value)


def test_unregister_restores_unsupported(hooked):
    unregister_provider_factory(HookedConnection)
    with pytest.raises(UnsupportedDriver):
        resolve_adapter(HookedConnection())


def test_none_connection():
    with pytest.raises(InvalidArgument):
        create_data_adapter(None)


def test_commands_attached_not_executed(hooked):
    """Test the four command slots are set and nothing runs"""
    cn = HookedConnection()
    select, insert, update, delete = (cn.create_command() for _ in range(4))

    adapter = create_data_adapter(cn, select, insert, update, delete)

    assert adapter.select_command is select
    assert adapter.insert_command is insert
    assert adapter.update_command is update
    assert adapter.delete_command is delete
    assert not any(e.startswith('command.') for e in cn.events)


class TestDataAdapterOperations:

    def test_fill_with_loader(self):
        """Test fill hands rows and column names to the loader"""
        cn = FakeConnection(rows=[(1, 'a'), (2, 'b')], columns=['id', 'name'])
        adapter = CustomAdapter(cn)
        adapter.select_command = cn.create_command()

        result = adapter.fill(data_loader=lambda data, columns, **kw: (data, columns))

        assert result == ([{'id': 1, 'name': 'a'}, {'id': 2, 'name': 'b'}], ['id', 'name'])
        assert cn.events[0] == 'connection.open'
        assert cn.events[-1] == 'reader.close'

    def test_fill_default_dataframe(self):
        cn = FakeConnection(rows=[(1, 'a')], columns=['id', 'name'])
        adapter = DataAdapter(cn)
        adapter.select_command = cn.create_command()

        df = adapter.fill()

        assert list(df.columns) == ['id', 'name']
        assert df.iloc[0]['name'] == 'a'

    def test_fill_requires_select(self):
        with pytest.raises(InvalidArgument):
            DataAdapter(FakeConnection()).fill()

    def test_update_runs_per_row(self):
        """Test each changed row is bound and executed"""
        cn = FakeConnection(affected=1)
        adapter = DataAdapter(cn)
        adapter.insert_command = cn.create_command()
        adapter.delete_command = cn.create_command()

        affected = adapter.update(inserted=[{'id': 1}, {'id': 2}], deleted=[{'id': 9}])

        assert affected == 3
        assert adapter.delete_command.executed_parameters == [{'@id': 9}]
        assert adapter.insert_command.executed_parameters == [{'@id': 1}, {'@id': 2}]

    def test_update_keeps_declared_parameters(self):
        """Test rows set values on parameters declared with a type and size"""
        cn = FakeConnection(affected=1)
        adapter = DataAdapter(cn)
        adapter.insert_command = cn.create_command()
        name = add_parameter(adapter.insert_command, 'name', None, DbType.STRING, size=3)

        adapter.update(inserted=[{'name': 'Dorothy', 'value': 1}, {'name': 'Ed', 'value': 2}])

        params = adapter.insert_command.parameters
        assert params['@name'] is name
        assert (name.db_type, name.size, name.value) == (DbType.STRING, 3, 'Ed')
        assert adapter.insert_command.executed_parameters == [
            {'@name': 'Dorothy', '@value': 1}, {'@name': 'Ed', '@value': 2}]

    def test_update_without_clearing_parameters(self):
        cn = FakeConnection(affected=1)
        adapter = DataAdapter(cn)
        adapter.update_command = cn.create_command()
        adapter.update_command.parameters = AppendOnlyParameters()

        assert adapter.update(updated=[{'id': 1}, {'id': 2}]) == 2
        assert adapter.update_command.executed_parameters == [{'@id': 1}, {'@id': 2}]

    def test_update_missing_command(self):
        adapter = DataAdapter(FakeConnection())
        with pytest.raises(InvalidArgument):
            adapter.update(updated=[{'id': 1}])

    def test_update_nothing_to_do(self):
        assert DataAdapter(FakeConnection()).update() == 0
