from unittest import mock

from config import Settings
from mailer import SmtpMailer, reset_link, reset_mail_body


def test_send_over_smtp():
    mailer = SmtpMailer("smtp.test", 2525, "no-reply@quiz.test", username="u", password="p")
    with mock.patch("mailer.smtplib.SMTP") as smtp_cls:
        mailer.send("a@x.com", "Hi", "Body text")

    smtp_cls.assert_called_once_with(host="smtp.test", port=2525, timeout=10.0)
    conn = smtp_cls.return_value.__enter__.return_value
    conn.starttls.assert_called_once_with()
    conn.login.assert_called_once_with("u", "p")
    message = conn.send_message.call_args[0][0]
    assert message["To"] == "a@x.com"
    assert message["From"] == "no-reply@quiz.test"
    assert message["Subject"] == "Hi"
    assert "Body text" in message.get_content()


def test_send_without_tls_or_login():
    mailer = SmtpMailer("localhost", 25, "no-reply@quiz.test", use_tls=False)
    with mock.patch("mailer.smtplib.SMTP") as smtp_cls:
        mailer.send("a@x.com", "Hi", "Body")
    conn = smtp_cls.return_value.__enter__.return_value
    conn.starttls.assert_not_called()
    conn.login.assert_not_called()
    conn.send_message.assert_called_once()


def test_from_settings():
    settings = Settings(mail_host="mail.test", mail_port=465, mail_from="x@quiz.test", mail_timeout=3.0)
    mailer = SmtpMailer.from_settings(settings)
    with mock.patch("mailer.smtplib.SMTP") as smtp_cls:
        mailer.send("a@x.com", "Hi", "Body")
    smtp_cls.assert_called_once_with(host="mail.test", port=465, timeout=3.0)


def test_reset_link():
    assert reset_link("https://q.test/reset.html", "abc") == "https://q.test/reset.html?token=abc"
    assert reset_link("https://q.test/reset?lang=en", "abc") == "https://q.test/reset?lang=en&token=abc"


def test_reset_mail_body():
    body = reset_mail_body("Ada", "https://q.test/reset.html?token=abc")
    assert body.startswith("Hello Ada,")
    assert "https://q.test/reset.html?token=abc" in body
    assert "60 minutes" in body
    assert reset_mail_body("", "link").startswith("Hello,")
