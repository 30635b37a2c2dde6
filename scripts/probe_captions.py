import sys
from tubetldr.config import settings
from tubetldr.providers.youtube import YouTubeProvider
from tubetldr.utils.logger import logger

if __name__ == "__main__":
    url = sys.argv[1] if len(sys.argv) > 1 else "https://www.youtube.com/watch?v=jNQXAC9IVRw"
    lang = sys.argv[2] if len(sys.argv) > 2 else settings.TRANSCRIPT_LANG
    p = YouTubeProvider()
    try:
        t = p.get_transcript(p.resolve(url), lang)
        print("title:", t.title)
        print("language:", t.language)
        print("segments:", len(t.segments))
        for s in t.segments[:5]:
            print(f"[{s.start:.2f} -> {s.end:.2f}] {s.text}")
    except Exception as e:
        logger.error(f"Transcript fetch failed: {e}")
        raise
