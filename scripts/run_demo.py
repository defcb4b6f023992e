from pathlib import Path
import argparse
import logging
import sys

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

if hasattr(sys.stdout, "reconfigure"):
    sys.stdout.reconfigure(encoding="utf-8")

from invoice_templates.config import TEMPLATES_DIR
from invoice_templates.extract.counterparty import recognize_counterparty
from invoice_templates.io.loader import load_batch
from invoice_templates.io.store import DirectoryBackend
from invoice_templates.io.templates import TemplateStore
from invoice_templates.learning.learner import TemplateLearner
from invoice_templates.logger_config import setup_logging
from invoice_templates.parsing.parser import TemplateAwareParser
from invoice_templates.rules.validation import invalid_fields

logger = logging.getLogger(__name__)


def main(batch_path="data/batch.json", templates_dir=TEMPLATES_DIR, learn=False):
    owner, documents = load_batch(batch_path)
    store = TemplateStore(DirectoryBackend(templates_dir))
    parser = TemplateAwareParser(store)
    learner = TemplateLearner(store)

    for doc in documents:
        parsed = parser.parse_document(doc["pages"], owner)
        print("=" * 60)
        print(f"Document: {doc['document_id']}")
        for name, value in parsed.as_dict().items():
            print(f"- {name}: {value}")
        bad = invalid_fields(parsed)
        if bad:
            print(f"Invalid: {', '.join(k.value for k in bad)}")

        if learn and doc["confirmed"] is not None and doc["pages"]:
            first = doc["pages"][0]
            candidate = recognize_counterparty(first.lines, owner)
            keys = candidate.keys()
            confirmed = doc["confirmed"]
            for extra in (confirmed.registration_id, confirmed.tax_id):
                if extra:
                    keys.append(extra)
            result = learner.learn(first.fragments, confirmed, keys, first.image_size)
            print(
                f"Learned: {[k.value for k in result.learned]} "
                f"rejected: {[k.value for k in result.rejected]} "
                f"skipped: {[k.value for k in result.skipped]}"
            )
            if not result.ok:
                logger.error(f"Template write failed for {result.failed_keys}")
    print("=" * 60)


if __name__ == "__main__":
    setup_logging()
    arg_parser = argparse.ArgumentParser(description="Parse a batch of OCR pages")
    arg_parser.add_argument("batch", nargs="?", default="data/batch.json")
    arg_parser.add_argument("--templates", default=str(TEMPLATES_DIR))
    arg_parser.add_argument("--learn", action="store_true")
    args = arg_parser.parse_args()
    main(args.batch, args.templates, args.learn)
