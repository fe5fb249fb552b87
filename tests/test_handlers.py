from babo import handlers
from babo.handlers import HandlerRegistry
from babo.protocol import MsgId, Proto


def echo(client, msg):
    return (client, msg.id)


def other(client, msg):
    return None


def test_registry_register_and_get():
    reg = HandlerRegistry()
    assert reg.has_handler(MsgId.LOGIN) is False
    assert reg.get_handler(MsgId.LOGIN) is None
    reg.register(MsgId.LOGIN, echo)
    assert reg.has_handler(MsgId.LOGIN) is True
    assert reg.get_handler(MsgId.LOGIN) is echo
    assert reg.get_handler(MsgId.LOGIN)("c", Proto(id=MsgId.LOGIN)) == ("c", MsgId.LOGIN)


def test_registry_int_and_enum_keys_match():
    reg = HandlerRegistry()
    reg.register(MsgId.MATCH, echo)
    assert reg.get_handler(int(MsgId.MATCH)) is echo


def test_registry_replaces_handler():
    reg = HandlerRegistry()
    reg.register(MsgId.MATCH, echo)
    reg.register(MsgId.MATCH, other)
    assert reg.get_handler(MsgId.MATCH) is other


def test_module_level_registry():
    handlers.register(MsgId.UNKNOWN, echo)
    assert handlers.has_handler(MsgId.UNKNOWN) is True
    assert handlers.get_handler(MsgId.UNKNOWN) is echo
    assert handlers.get_handler(12345) is None