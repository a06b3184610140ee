import logging

from clinic.notifications import Announcement, MemorySink, NotificationRelay, NullSink, PrintSink, Severity


def test_relay_forwards_to_sink() -> None:
    sink = MemorySink()
    relay = NotificationRelay(sink)

    relay.success('Titolo', 'Tutto ok')
    relay.failure('Errore', 'Qualcosa non va')
    relay.announce('Info', 'Testo', 'destructive')

    assert sink.items == [
        Announcement('Titolo', 'Tutto ok', Severity.NORMAL),
        Announcement('Errore', 'Qualcosa non va', Severity.DESTRUCTIVE),
        Announcement('Info', 'Testo', Severity.DESTRUCTIVE),
    ]
    assert len(sink.by_severity(Severity.DESTRUCTIVE)) == 2


def test_relay_never_raises(caplog) -> None:
    class BrokenSink:
        def announce(self, title, description, severity):
            raise RuntimeError('toast down')

    with caplog.at_level(logging.ERROR, logger='clinic.notifications'):
        NotificationRelay(BrokenSink()).failure('Errore', 'x')

    assert 'Notifica non consegnata' in caplog.text


def test_default_sink_is_noop() -> None:
    relay = NotificationRelay()

    relay.success('Titolo', 'Testo')

    assert isinstance(relay.sink, NullSink)


def test_print_sink(capsys) -> None:
    PrintSink().announce('Errore', 'Aggiornamento fallito', Severity.DESTRUCTIVE)

    assert capsys.readouterr().out == '[ERRORE] Errore: Aggiornamento fallito\n'
