from dataclasses import dataclass
from typing import NamedTuple

import pytest
from dataaccess.exceptions import InvalidArgument
from dataaccess.parameters import add_in_out_parameter, add_out_parameter
from dataaccess.parameters import add_parameter, add_parameters
from dataaccess.parameters import add_return_parameter, normalize_parameter_name
from dataaccess.parameters import to_parameter_dict
from dataaccess.types import DbType, ParameterDirection


@pytest.fixture
def command(fake_connection):
    return fake_connection().create_command()


@dataclass
class Customer:
    id: int
    name: str


class Point(NamedTuple):
    x: int
    y: int


class TestNormalizeParameterName:

    @pytest.mark.parametrize(('name', 'expected'), [
        ('id', '@id'),
        ('@id', '@id'),
        ('  id ', '@id'),
        ('CustomerId', '@CustomerId'),
    ])
    def test_adds_single_marker(self, name, expected):
        """Test the marker is added exactly once"""
        assert normalize_parameter_name(name) == expected

    def test_idempotent(self):
        """Test normalizing twice equals normalizing once"""
        once = normalize_parameter_name('total')
        assert normalize_parameter_name(once) == once

    @pytest.mark.parametrize('name', [None, '', '   ', '\t\n', '@'])
    def test_rejects_blank(self, name):
        """Test empty, whitespace and marker-only names are rejected"""
        with pytest.raises(InvalidArgument):
            normalize_parameter_name(name)


class TestAddParameter:

    def test_attaches_normalized_parameter(self, command):
        """Test the returned parameter is attached with the marker"""
        param = add_parameter(command, 'id', 5)

        assert param.name == '@id'
        assert param.value == 5
        assert param.direction == ParameterDirection.INPUT
        assert param.db_type is None
        assert param.size is None
        assert list(command.parameters) == [param]

    def test_sets_type_and_size(self, command):
        """Test optional type and size are applied"""
        param = add_parameter(command, 'name', 'abc', db_type=DbType.STRING, size=50)

        assert param.db_type == DbType.STRING
        assert param.size == 50

    def test_rebinding_replaces(self, command):
        """Test binding the same name twice keeps one parameter"""
        add_parameter(command, 'id', 1)
        second = add_parameter(command, '@ID', 2)

        assert len(command.parameters) == 1
        assert command.parameters['id'] is second
        assert second.value == 2

    def test_none_command(self):
        """Test a missing command is rejected"""
        with pytest.raises(InvalidArgument):
            add_parameter(None, 'id', 1)

    @pytest.mark.parametrize('binder', [
        lambda cmd, name: add_parameter(cmd, name, 1),
        lambda cmd, name: add_in_out_parameter(cmd, name, 1),
        lambda cmd, name: add_out_parameter(cmd, name),
        lambda cmd, name: add_return_parameter(cmd, name),
    ])
    @pytest.mark.parametrize('name', ['', '   '])
    def test_every_binder_rejects_whitespace(self, command, binder, name):
        """Test every binder rejects whitespace names before touching the command"""
        with pytest.raises(InvalidArgument):
            binder(command, name)
        assert len(command.parameters) == 0


class TestDirectionalBinders:

    def test_in_out(self, command):
        """Test input/output parameters keep their value"""
        param = add_in_out_parameter(command, 'counter', 3, db_type=DbType.INT32)

        assert param.direction == ParameterDirection.INPUT_OUTPUT
        assert param.value == 3
        assert param.is_input and param.is_output

    def test_out(self, command):
        """Test output parameters have no value"""
        param = add_out_parameter(command, 'total', DbType.DECIMAL, 18)

        assert param.direction == ParameterDirection.OUTPUT
        assert param.value is None
        assert param.size == 18
        assert not param.is_input

    def test_return(self, command):
        """Test return-value parameters"""
        param = add_return_parameter(command, 'RETURN_VALUE', DbType.INT32)

        assert param.name == '@RETURN_VALUE'
        assert param.direction == ParameterDirection.RETURN_VALUE
        assert param.is_output


class TestParameterSources:

    def test_mapping(self, command):
        """Test mapping entries become parameters in insertion order"""
        params = add_parameters(command, {'b': 2, 'a': 1})

        assert [p.name for p in params] == ['@b', '@a']
        assert [p.value for p in params] == [2, 1]
        assert all(p.direction == ParameterDirection.INPUT for p in params)

    def test_dataclass(self, command):
        """Test one parameter per dataclass field"""
        add_parameters(command, Customer(id=7, name='Ann'))

        assert {p.name: p.value for p in command.parameters} == {'@id': 7, '@name': 'Ann'}

    def test_namedtuple(self):
        """Test NamedTuple fields are used by name"""
        assert to_parameter_dict(Point(1, 2)) == {'x': 1, 'y': 2}

    def test_none_is_empty(self):
        assert to_parameter_dict(None) == {}

    @pytest.mark.parametrize('source', [[1, 2], (1, 2), 'abc', 42, Customer])
    def test_rejects_other_shapes(self, source):
        """Test plain sequences, scalars and classes are not parameter sources"""
        with pytest.raises(InvalidArgument):
            to_parameter_dict(source)


if __name__ == '__main__':
    __import__('pytest').main([__file__])
