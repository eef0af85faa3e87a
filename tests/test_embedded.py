import json
import unittest

from zigsync.crawler.embedded import (
    collect_payload,
    extract_embedded,
    extract_embedded_object,
    find_object_start,
    scan_object_end,
    unescape_chunk,
)

RECRUITMENT = {
    "id": "b33fb1f8",
    "title": "백엔드 개발자 {Python}",
    "company": {"name": "직항", "image": "https://cdn.example/logo.png"},
    "regions": ["서울 강남구"],
    "deadlineType": "DATE",
    "content": {"type": "doc", "content": []},
}


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _flight_html(*pieces: str) -> str:
    scripts = "".join(
        f'<script>self.__next_f.push([1,"{_escape(p)}"])</script>' for p in pieces
    )
    return f"<html><body>{scripts}</body></html>"


def _payload_text() -> str:
    return '1:["$","div",null,{"recruitment":%s,"viewType":"page"}]\n' % json.dumps(
        RECRUITMENT, ensure_ascii=False
    )


class EmbeddedExtractorTests(unittest.TestCase):
    def test_single_fragment(self):
        result = extract_embedded_object(_flight_html(_payload_text()), "recruitment")
        self.assertTrue(result.ok)
        self.assertEqual(result.data, RECRUITMENT)

    def test_split_fragments_match_single_fragment(self):
        text = _payload_text()
        single = extract_embedded(_flight_html(text))
        for parts in (2, 3, 7, len(text)):
            step = max(1, len(text) // parts)
            pieces = [text[i:i + step] for i in range(0, len(text), step)]
            with self.subTest(parts=len(pieces)):
                self.assertEqual(extract_embedded(_flight_html(*pieces)), single)

    def test_unescape_order(self):
        self.assertEqual(unescape_chunk('a\\nb'), "a\nb")
        self.assertEqual(unescape_chunk('\\"x\\"'), '"x"')
        self.assertEqual(unescape_chunk('\\\\\\"'), '\\"')

    def test_escaped_quote_inside_value(self):
        data = {"title": 'say "hi" }', "n": 1}
        text = '{"recruitment":%s}' % json.dumps(data)
        self.assertEqual(extract_embedded(_flight_html(text)), data)

    def test_missing_marker(self):
        result = extract_embedded_object("<html><body>plain</body></html>", "recruitment")
        self.assertEqual(result.status, "missing_marker")
        self.assertTrue(result.needs_fallback)
        self.assertIsNone(result.data)

    def test_missing_key(self):
        result = extract_embedded_object(_flight_html('{"company":{"name":"x"}}'), "recruitment")
        self.assertEqual(result.status, "missing_key")

    def test_invalid_json(self):
        result = extract_embedded_object(_flight_html('{"recruitment":{"title":oops}}'), "recruitment")
        self.assertEqual(result.status, "invalid_json")
        self.assertIsNone(extract_embedded(_flight_html('{"recruitment":{"a":1')))

    def test_first_key_occurrence_wins(self):
        text = '{"recruitment":{"id":"first"},"page":{"recruitment":{"id":"second"}}}'
        self.assertEqual(extract_embedded_object(_flight_html(text), "recruitment").data, {"id": "first"})
        self.assertEqual(find_object_start(text, "recruitment"), len('{"recruitment":'))
        self.assertIsNone(find_object_start(text, "company"))

    def test_collect_payload_joins_in_order(self):
        self.assertEqual(collect_payload(_flight_html("ab", "cd")), "abcd")
        self.assertIsNone(collect_payload(""))

    def test_scan_object_end(self):
        text = 'x{"a":{"b":"}"}}tail'
        self.assertEqual(text[1:scan_object_end(text, 1)], '{"a":{"b":"}"}}')
        self.assertIsNone(scan_object_end("{{}", 0))


if __name__ == "__main__":
    unittest.main()
