import json

from storefront.extract.languages import (
   detect_languages,
   detect_subscription,
   is_ru_token,
   visible_text,
)


def _next(tree):
   return f'<script id="__NEXT_DATA__" type="application/json">{json.dumps(tree)}</script>'


def test_is_ru_token():
   for v in ("ru", "RU-RU", "ru_ru", "Russian", "Русский", "Російська"):
      assert is_ru_token(v), v
   for v in ("en", "rus", "", None):
      assert not is_ru_token(v), v


def test_voice_from_next_data():
   html = _next({"props": {"product": {"audioLanguages": ["en", "ru"], "subtitleLanguages": ["en"]}}})
   info = detect_languages(html)
   assert info.ru == "voice"
   assert info.source == "next"


def test_text_from_next_data():
   html = _next({"props": {"spokenLanguages": ["en"], "screenLanguages": [{"code": "RU-RU"}]}})
   assert detect_languages(html).ru == "text"


def test_text_labels_fallback():
   html = "<div>Subtitles: Русский, English</div><div>Audio languages: English</div>"
   info = detect_languages(html)
   assert info.ru == "text"
   assert info.source == "text"

   html = "<div>Ses dilleri</div><div>Rusça, Russian</div>"
   assert detect_languages(html).ru == "voice"


def test_no_russian():
   assert detect_languages("<html><p>Audio languages: English</p></html>").ru == "none"
   assert detect_languages(_next({"props": {"audioLanguages": ["en"]}})).ru == "none"


def test_subscription_detection():
   assert detect_subscription("Included with EA Play") == "eaplay"
   assert detect_subscription("Play it with PlayStation Plus Extra") == "psplus_extra"
   assert detect_subscription("PS Plus Essential required for online") == ""
   assert detect_languages("<p>Included with EA Play</p>").sub == "eaplay"


def test_visible_text_drops_scripts():
   text = visible_text("<p>Hello &amp; bye</p><script>var ru = 1;</script><div>Next</div>")
   assert text.split("\n") == ["Hello & bye", "Next"]
