import os
import sys
import tempfile
import unittest
from pathlib import Path

sys.path.append(os.getcwd())
from streammirror.core.paths import PathMapper
from streammirror.exceptions import FetchError, ReferenceResolutionError
from streammirror.mirror.context import MirrorContext
from streammirror.mirror.hls import HlsRewriter, classify_reference, iter_lines
from streammirror.models import Dialect, MirrorSummary, ResourceKind
from streammirror.services.storage import LocalStorage
from tests.fakes import FakeFetcher, read_text

MASTER = "https://h/a/b/master.m3u8"
CHILD = "https://h/a/b/sub/child.m3u8"


class TestHlsRewriter(unittest.TestCase):

    def setUp(self):
        self.test_dir = tempfile.TemporaryDirectory()
        self.out = Path(self.test_dir.name) / "out"

    def tearDown(self):
        self.test_dir.cleanup()

    def _mirror(self, resources, start=MASTER) -> MirrorContext:
        self.fetcher = FakeFetcher(resources)
        context = MirrorContext(
            mapper=PathMapper.for_master(self.out, start),
            fetcher=self.fetcher,
            storage=LocalStorage(),
            summary=MirrorSummary(dialect=Dialect.HLS),
        )
        HlsRewriter(context).mirror(start)
        return context

    def test_nested_playlists_scenario(self):
        """maestro -> sub/child.m3u8 -> seg1.ts con rutas relativas reescritas."""
        self._mirror(
            {
                MASTER: "#EXTM3U\nsub/child.m3u8\n",
                CHILD: "#EXTM3U\nseg1.ts\n",
                "https://h/a/b/sub/seg1.ts": b"\x47\x00",
            }
        )

        self.assertTrue((self.out / "master.m3u8").exists())
        self.assertTrue((self.out / "sub" / "child.m3u8").exists())
        self.assertEqual((self.out / "sub" / "seg1.ts").read_bytes(), b"\x47\x00")

        self.assertEqual(read_text(self.out / "master.m3u8"), "#EXTM3U\nsub/child.m3u8\n")
        self.assertEqual(read_text(self.out / "sub" / "child.m3u8"), "#EXTM3U\nseg1.ts\n")

    def test_original_is_kept(self):
        original = "#EXTM3U\r\n#EXT-X-VERSION:3\r\nhttps://h/a/b/seg.ts\r\n"
        self._mirror({MASTER: original, "https://h/a/b/seg.ts": b"x"})

        self.assertEqual((self.out / "master.m3u8.orig").read_bytes(), original.encode())
        self.assertEqual(
            read_text(self.out / "master.m3u8"), "#EXTM3U\n#EXT-X-VERSION:3\nseg.ts\n"
        )

    def test_uri_attribute_rewrite_is_exact(self):
        """Solo cambia el valor entre URI=" y la siguiente comilla."""
        self._mirror(
            {
                MASTER: (
                    "#EXTM3U\n"
                    '#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aud",URI="https://h/a/b/audio/index.m3u8",DEFAULT=YES\n'
                    "\n"
                    '#EXT-X-STREAM-INF:BANDWIDTH=1000,AUDIO="aud"\n'
                    "sub/child.m3u8\n"
                ),
                "https://h/a/b/audio/index.m3u8": "#EXTM3U\n#EXTINF:4.0,\na1.aac\n",
                "https://h/a/b/audio/a1.aac": b"aac",
                CHILD: (
                    "#EXTM3U\n"
                    '#EXT-X-KEY:METHOD=AES-128,URI="https://h/a/b/keys/k.key",IV=0x01\n'
                    '#EXT-X-MAP:URI="init.mp4"\n'
                    "#EXTINF:4.0,\n"
                    "seg1.m4s\n"
                ),
                "https://h/a/b/keys/k.key": b"k" * 16,
                "https://h/a/b/sub/init.mp4": b"init",
                "https://h/a/b/sub/seg1.m4s": b"seg",
            }
        )

        master = read_text(self.out / "master.m3u8").split("\n")
        self.assertEqual(
            master[1],
            '#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aud",URI="audio/index.m3u8",DEFAULT=YES',
        )
        self.assertEqual(master[2], "")
        self.assertEqual(master[3], '#EXT-X-STREAM-INF:BANDWIDTH=1000,AUDIO="aud"')

        child = read_text(self.out / "sub" / "child.m3u8").split("\n")
        self.assertEqual(child[1], '#EXT-X-KEY:METHOD=AES-128,URI="../keys/k.key",IV=0x01')
        self.assertEqual(child[2], '#EXT-X-MAP:URI="init.mp4"')
        self.assertTrue((self.out / "keys" / "k.key").exists())

    def test_duplicate_reference_is_fetched_once(self):
        context = self._mirror(
            {
                MASTER: "#EXTM3U\nsub/child.m3u8\nsub/child.m3u8\n",
                CHILD: "#EXTM3U\nseg1.ts\nseg1.ts\n",
                "https://h/a/b/sub/seg1.ts": b"x",
            }
        )

        self.assertEqual(self.fetcher.counts["https://h/a/b/sub/seg1.ts"], 1)
        self.assertEqual(self.fetcher.counts[CHILD], 1)
        self.assertEqual(read_text(self.out / "sub" / "child.m3u8"), "#EXTM3U\nseg1.ts\nseg1.ts\n")
        self.assertEqual(context.summary.manifests, 2)
        self.assertEqual(context.summary.binaries, 1)

    def test_self_reference_terminates(self):
        self._mirror({MASTER: "#EXTM3U\nmaster.m3u8\n"})

        self.assertEqual(self.fetcher.counts[MASTER], 1)
        self.assertEqual(read_text(self.out / "master.m3u8"), "#EXTM3U\nmaster.m3u8\n")

    def test_query_string_segments(self):
        self._mirror(
            {
                MASTER: "#EXTM3U\nseg.ts?tok=1\nseg.ts?tok=2\n",
                "https://h/a/b/seg.ts?tok=1": b"1",
                "https://h/a/b/seg.ts?tok=2": b"2",
            }
        )

        self.assertEqual(
            read_text(self.out / "master.m3u8"),
            "#EXTM3U\nseg__q_tok_1.ts\nseg__q_tok_2.ts\n",
        )
        self.assertEqual((self.out / "seg__q_tok_2.ts").read_bytes(), b"2")

    def test_not_a_playlist_falls_back_to_binary(self):
        """Un .m3u8 sin #EXTM3U se guarda como binario sin abortar."""
        context = self._mirror(
            {
                MASTER: "#EXTM3U\nsub/child.m3u8\n",
                CHILD: b"<html>403</html>",
            }
        )

        self.assertEqual((self.out / "sub" / "child.m3u8").read_bytes(), b"<html>403</html>")
        self.assertFalse((self.out / "sub" / "child.m3u8.orig").exists())
        self.assertEqual(context.summary.fallbacks, [CHILD])
        self.assertEqual(self.fetcher.counts[CHILD], 1)

    def test_rewritten_references_exist_on_disk(self):
        self._mirror(
            {
                MASTER: "#EXTM3U\nsub/child.m3u8\nhttps://h/a/x/other.m3u8\n",
                CHILD: "#EXTM3U\nseg1.ts\n../keys/k.key\n",
                "https://h/a/x/other.m3u8": "#EXTM3U\n/a/b/sub/seg1.ts\nseg2.ts\n",
                "https://h/a/b/sub/seg1.ts": b"1",
                "https://h/a/b/keys/k.key": b"k",
                "https://h/a/x/seg2.ts": b"2",
            }
        )

        for manifest in self.out.rglob("*.m3u8"):
            for line in read_text(manifest).splitlines():
                if not line or line.startswith("#"):
                    continue
                self.assertTrue(
                    (manifest.parent / line).exists(), f"{line} desde {manifest}"
                )

    def test_references_cannot_escape_output(self):
        """Segmentos ".." o "//" en la URL nunca escriben fuera de out."""
        self.out = Path(self.test_dir.name) / "deep" / "out"
        self._mirror(
            {
                MASTER: "#EXTM3U\nhttps://h/a/../../x/escaped.ts\nhttps://h/a//tmp/x.ts\n",
                "https://h/x/escaped.ts": b"1",
                "https://h/a//tmp/x.ts": b"2",
            }
        )

        self.assertEqual((self.out / "x" / "escaped.ts").read_bytes(), b"1")
        self.assertEqual((self.out / "tmp" / "x.ts").read_bytes(), b"2")
        self.assertFalse((Path(self.test_dir.name) / "x" / "escaped.ts").exists())
        self.assertEqual(
            read_text(self.out / "master.m3u8"), "#EXTM3U\nx/escaped.ts\ntmp/x.ts\n"
        )
        written = [p for p in Path(self.test_dir.name).rglob("*") if p.is_file()]
        for path in written:
            self.assertTrue(path.resolve().is_relative_to(self.out.resolve()), path)

    def test_equivalent_urls_fetched_once(self):
        """Mismo recurso escrito de tres formas: una sola descarga y un solo archivo."""
        context = self._mirror(
            {
                MASTER: (
                    "#EXTM3U\n"
                    "seg.ts\n"
                    "https://H:443/a/b/seg.ts\n"
                    "https://h/a/b/./seg.ts\n"
                ),
                "https://h/a/b/seg.ts": b"ts",
            }
        )

        self.assertEqual(self.fetcher.counts["https://h/a/b/seg.ts"], 1)
        self.assertEqual(len(self.fetcher.calls), 2)
        self.assertEqual(context.summary.binaries, 1)
        self.assertEqual(
            read_text(self.out / "master.m3u8"), "#EXTM3U\nseg.ts\nseg.ts\nseg.ts\n"
        )

    def test_fetch_error_aborts(self):
        with self.assertRaises(FetchError) as ctx:
            self._mirror({MASTER: "#EXTM3U\nmissing.ts\n"})
        self.assertEqual(ctx.exception.url, "https://h/a/b/missing.ts")

    def test_unresolvable_reference_aborts(self):
        with self.assertRaises(ReferenceResolutionError):
            self._mirror({MASTER: "#EXTM3U\nhttp://[::1\n"})


class TestIterLines(unittest.TestCase):

    def test_classify_reference(self):
        self.assertEqual(classify_reference("https://h/a/INDEX.M3U8?x=1"), ResourceKind.MANIFEST)
        self.assertEqual(classify_reference("https://h/a/seg.ts"), ResourceKind.BINARY)

    def test_crlf_and_trailing_newline(self):
        self.assertEqual(list(iter_lines("a\r\nb\n\nc\n")), ["a", "b", "", "c"])
        self.assertEqual(list(iter_lines("a")), ["a"])


if __name__ == "__main__":
    unittest.main()
