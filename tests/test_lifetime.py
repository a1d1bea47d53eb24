import unittest

import pytest

from depwire import Container, Lifetime, UnregisteredTypeError


class TestLifetimeControl(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()

    def test_get_singleton_returns_same_instance(self):
        class A: ...

        self.cont.register(A, lifetime=Lifetime.SINGLETON)
        provider = self.cont.make()

        a1 = provider.get(A)
        a2 = provider.get(A)
        assert a2 is a1, "SINGLETON should return the cached instance"

    def test_get_transient_returns_new_instances(self):
        class A: ...

        self.cont.register(A, lifetime=Lifetime.TRANSIENT)
        provider = self.cont.make()

        a1 = provider.get(A)
        a2 = provider.get(A)
        assert a2 is not a1, "TRANSIENT should return new instances"

    def test_register_defaults_to_singleton(self):
        class A: ...

        self.cont.register(A)
        provider = self.cont.make()

        assert provider.get(A) is provider.get(A)

    def test_register_instance_is_always_singleton(self):
        class A: ...

        inst = A()
        self.cont.register_instance(inst)
        provider = self.cont.make()

        assert provider.get(A) is inst
        assert provider.get(A) is inst

    def test_each_make_builds_an_independent_singleton_cache(self):
        class A: ...

        self.cont.register(A)

        first = self.cont.make()
        second = self.cont.make()

        assert first.get(A) is first.get(A)
        assert first.get(A) is not second.get(A)

    def test_singleton_factory_runs_once(self):
        calls = []

        class A: ...

        def make_a(_):
            calls.append(1)
            return A()

        self.cont.register_factory(make_a, A)
        provider = self.cont.make()

        provider.get(A)
        provider.get(A)
        assert len(calls) == 1


def test_get_unregistered_type_raises_and_caches_nothing():
    class Missing: ...

    provider = Container().make()

    with pytest.raises(UnregisteredTypeError) as ctx:
        provider.get(Missing)

    assert ctx.value.token is Missing
    assert "Missing" in str(ctx.value)
    assert Missing not in provider._singletons
    assert provider._resolving == []


def test_get_unregistered_string_token_raises_lookup_error():
    provider = Container().make()

    with pytest.raises(LookupError):
        provider.get("unknown-token")


def test_first_registration_wins_for_single_requests():
    class Sink: ...

    class FileSink(Sink): ...

    class NetSink(Sink): ...

    c = Container()
    c.register(FileSink)
    c.register(NetSink)
    provider = c.make()

    assert type(provider.get(Sink)) is FileSink
    assert type(provider.get(NetSink)) is NetSink


def test_singletons_are_cached_per_requested_type():
    class Sink: ...

    class FileSink(Sink): ...

    c = Container()
    c.register(FileSink)
    provider = c.make()

    assert provider.get(Sink) is provider.get(Sink)
    assert provider.get(FileSink) is provider.get(FileSink)
    assert provider.get(Sink) is not provider.get(FileSink)
