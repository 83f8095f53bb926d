# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
"""
Marks for annotating event handler methods
"""
_attr = 'switchbridge_init_events'


def extend_attr_list(obj, attr, items):
    try:
        getattr(obj, attr).extend(items)
    except AttributeError:
        setattr(obj, attr, list(items))


def handler(event_type):
    """Decorator to mark a function for handling events of a
    particular type
    """
    def inner(func):
        extend_attr_list(func, _attr, [event_type])
        return func

    return inner


def get_callbacks(ns, skip=()):
    """Deliver all marked handlers found in a namespace object.

    :param ns namespace: the namespace object containing marked handlers
    :yields: event_type, callback_obj
    """
    for name in (name for name in dir(ns) if name not in skip):
        try:
            obj = getattr(ns, name)
        except AttributeError:
            continue
        ev_types = getattr(obj, _attr, False)
        if ev_types and callable(obj):
            for ev in ev_types:
                yield ev, obj
