"""
Shared test utilities for madOS Bluetooth Menu tests.

Provides stub gi and dbus modules so the package can be imported and
exercised without GObject introspection, a system bus or BlueZ.
"""

import functools
import sys
import types

# gi.repository sub-modules the package touches.
DEFAULT_GI_MODULES = ("GLib", "Notify")


def create_gtk_mocks(extra_modules=()):
    """
    Create mock gi modules for headless testing.

    Returns a tuple of (gi_mock, repo_mock) that can be installed into
    sys.modules to allow importing modules that depend on gi without
    requiring an actual GObject introspection installation.

    *extra_modules* is an optional iterable of additional gi.repository
    sub-module names to stub.
    """
    gi_mock = types.ModuleType("gi")
    gi_mock.require_version = lambda *a, **kw: None

    repo_mock = types.ModuleType("gi.repository")

    class _StubMeta(type):
        def __getattr__(cls, name):
            return _StubObject

    class _StubObject(metaclass=_StubMeta):
        """No-op GObject stub for headless CI."""

        def __init__(self, *a, **kw):
            pass  # Intentionally empty: absorb any constructor arguments

        def __getattr__(self, name):
            return _stub_func

    def _stub_func(*a, **kw):
        return _StubObject()

    class _StubModule:
        def __getattr__(self, name):
            return _StubObject

    for name in (*DEFAULT_GI_MODULES, *extra_modules):
        setattr(repo_mock, name, _StubModule())

    # GLib.Error is used in except clauses and must be a real exception type.
    repo_mock.GLib.Error = type("Error", (Exception,), {})

    gi_mock.repository = repo_mock
    return gi_mock, repo_mock


def install_gtk_mocks(extra_modules=(), *, use_setdefault=False):
    """Create **and** install gi mocks into ``sys.modules``.

    Parameters
    ----------
    extra_modules:
        Additional gi.repository sub-module names to stub.
    use_setdefault:
        If *True*, use ``sys.modules.setdefault`` instead of direct
        assignment so that previously-installed real modules are kept.
    """
    gi_mock, repo_mock = create_gtk_mocks(extra_modules)
    if use_setdefault:
        sys.modules.setdefault("gi", gi_mock)
        sys.modules.setdefault("gi.repository", repo_mock)
    else:
        sys.modules["gi"] = gi_mock
        sys.modules["gi.repository"] = repo_mock
    return gi_mock, repo_mock


def create_dbus_mocks():
    """Create a minimal stand-in for the dbus-python package.

    Only the names the Bluetooth backend uses are provided: the wrapper
    types, ``Interface``, ``DBusException``, ``service.Object`` and
    ``service.method``, and the GLib main loop glue.  The bus itself is
    supplied per test (see ``FakeBus``).
    """
    dbus_mock = types.ModuleType("dbus")
    exceptions_mock = types.ModuleType("dbus.exceptions")
    service_mock = types.ModuleType("dbus.service")
    mainloop_mock = types.ModuleType("dbus.mainloop")
    glib_mock = types.ModuleType("dbus.mainloop.glib")

    class DBusException(Exception):
        _dbus_error_name = None

        def __init__(self, *args, name=None):
            super().__init__(*args)
            if name is not None:
                self._dbus_error_name = name

        def get_dbus_name(self):
            return self._dbus_error_name

        def get_dbus_message(self):
            return self.args[0] if self.args else ""

    class Interface:
        def __init__(self, obj, dbus_interface):
            self._obj = obj
            self._interface = dbus_interface

        def __getattr__(self, member):
            return functools.partial(self._obj.call, self._interface, member)

    class Boolean(int):
        pass

    class Object:
        def __init__(self, conn=None, object_path=None, bus_name=None):
            self.connection = conn
            self.object_path = object_path
            self.removed = False

        def remove_from_connection(self):
            self.removed = True

    def method(dbus_interface, in_signature=None, out_signature=None):
        def decorator(func):
            return func
        return decorator

    exceptions_mock.DBusException = DBusException
    dbus_mock.exceptions = exceptions_mock
    dbus_mock.DBusException = DBusException
    dbus_mock.Interface = Interface
    dbus_mock.Boolean = Boolean
    dbus_mock.ObjectPath = type("ObjectPath", (str,), {})
    dbus_mock.String = type("String", (str,), {})
    dbus_mock.UInt32 = type("UInt32", (int,), {})
    dbus_mock.Dictionary = type("Dictionary", (dict,), {})
    dbus_mock.Array = type("Array", (list,), {})
    dbus_mock.SystemBus = None

    service_mock.Object = Object
    service_mock.method = method
    dbus_mock.service = service_mock

    glib_mock.DBusGMainLoop = lambda *a, **kw: None
    glib_mock.threads_init = lambda: None
    mainloop_mock.glib = glib_mock
    dbus_mock.mainloop = mainloop_mock

    return {
        "dbus": dbus_mock,
        "dbus.exceptions": exceptions_mock,
        "dbus.service": service_mock,
        "dbus.mainloop": mainloop_mock,
        "dbus.mainloop.glib": glib_mock,
    }


def install_dbus_mocks():
    """Create **and** install the dbus stubs into ``sys.modules``."""
    modules = create_dbus_mocks()
    sys.modules.update(modules)
    return modules["dbus"]


# Response that never calls back, as when bluetoothd does not answer.
NO_REPLY = object()


class FakeMatch:
    def __init__(self):
        self.removed = False

    def remove(self):
        self.removed = True


class FakeBusObject:
    """Proxy returned by FakeBus.get_object; answers through the bus."""

    def __init__(self, bus, path):
        self.bus = bus
        self.path = path

    def call(self, interface, member, *args, reply_handler=None, error_handler=None,
             timeout=None):
        self.bus.calls.append((self.path, interface, member) + tuple(args))
        response = self.bus.responses.get((self.path, interface, member))
        if response is None:
            response = self.bus.responses.get((None, interface, member), ())
        if response is NO_REPLY:
            return
        if callable(response):
            response = response(*args)
        if isinstance(response, Exception):
            error_handler(response)
        elif reply_handler is not None:
            reply_handler(*response)


class FakeBus:
    """Records method calls and signal subscriptions of the backend.

    ``responses`` maps ``(path, interface, member)`` (path may be None as
    a wildcard) to a tuple of reply values, an exception instance to fail
    with, or a callable computing either.
    """

    def __init__(self, owner="org.bluez"):
        self.owner = owner
        self.calls = []
        self.responses = {}
        self.receivers = []
        self.closed = False

    def get_name_owner(self, name):
        if self.owner is None:
            exc = sys.modules["dbus.exceptions"].DBusException
            raise exc("The name is not activatable",
                      name="org.freedesktop.DBus.Error.NameHasNoOwner")
        return ":1.7"

    def get_object(self, bus_name, path, introspect=True):
        return FakeBusObject(self, path)

    def add_signal_receiver(self, handler, **kw):
        match = FakeMatch()
        self.receivers.append((handler, kw, match))
        return match

    def close(self):
        self.closed = True


class FakeBridge:
    """Scripted stand-in for LauncherBridge.

    ``choices`` is consumed one item per presentation: a label picks the
    entry whose label equals it, None simulates a cancelled launcher, and
    a callable receives the entries and returns the raw line.
    """

    def __init__(self, choices=()):
        self.choices = list(choices)
        self.presented = []
        self.prompts = []
        self.inputs = []
        self.cancelled = 0
        # Raised instead of presenting when a caller asks not to wait
        self.busy = None

    def present(self, entries, prompt=None, placeholder=None, wait=True):
        if self.busy is not None and not wait:
            raise self.busy
        self.presented.append(list(entries))
        self.prompts.append(prompt)
        if not self.choices:
            return None
        choice = self.choices.pop(0)
        if callable(choice):
            return choice(entries)
        if choice is None:
            return None
        for entry in entries:
            if entry.label == choice:
                return entry.line
        return choice

    def prompt_input(self, prompt, wait=True):
        if self.busy is not None and not wait:
            raise self.busy
        self.prompts.append(prompt)
        return self.inputs.pop(0) if self.inputs else None

    def cancel(self):
        self.cancelled += 1
