import streamlit as st
import dotenv

from instapay_ocr.agents.instapay_pipeline import extract_amount_from_image, parse_manual_amount
from instapay_ocr.components.image_preprocessor import preprocess
from instapay_ocr.components.ocr_handler import OCRHandler, configured_backend, missing_env_vars
from instapay_ocr.exception import CustomException
from instapay_ocr.logger import get_logger
from instapay_ocr.models import PreprocessOptions
from instapay_ocr.utils.load_config import load_config_or_default

dotenv.load_dotenv()
logger = get_logger(__name__)

config = load_config_or_default()

options = PreprocessOptions.from_config(config)
backend = configured_backend(config)

missing = missing_env_vars(backend)
if missing:
    raise RuntimeError(f"Missing env vars: {missing}")


def initialize_session():
    """Ensures session state keys exist."""
    if 'ocr_handler' not in st.session_state:
        st.session_state['ocr_handler'] = OCRHandler(backend=backend)
    if 'extractions' not in st.session_state:
        st.session_state['extractions'] = {}


st.set_page_config(page_title="Instapay Donation", layout="wide")
st.title("💸 Add Instapay Donation")
st.write("Upload your Instapay confirmation screenshots; the amount is read automatically.")

initialize_session()

uploaded_files = st.file_uploader(
    "Upload screenshots (JPEG, PNG)",
    type=["png", "jpg", "jpeg"],
    accept_multiple_files=True,
    key="instapay_uploader",
)

amounts = []
for index, f in enumerate(uploaded_files or [], start=1):
    data = bytes(f.getbuffer())

    if f.file_id not in st.session_state['extractions']:
        with st.spinner(f"Reading {f.name}..."):
            try:
                st.session_state['extractions'][f.file_id] = extract_amount_from_image(
                    data, file_name=f.name, ocr_handler=st.session_state['ocr_handler'], options=options
                )
            except CustomException as e:
                logger.error("Error processing %s: %s", f.name, e)
                st.error(f"Failed to process {f.name}")
                continue

    result = st.session_state['extractions'][f.file_id]
    cols = st.columns(2)
    with cols[0]:
        st.image(preprocess(data, options).data, caption=f"{f.name} (preprocessed)")
    with cols[1]:
        manual = st.text_input(
            f"Amount ({index})",
            value=str(result.amount) if result.amount is not None else "",
            placeholder="Enter amount",
            key=f"amount_{f.file_id}",
        )
        if result.needs_manual_entry and not manual:
            st.warning("OCR detection returned nothing - please enter the amount manually.")
        with st.expander("Detected text"):
            st.text(result.raw_text or "(no text)")
    amounts.append((f.name, manual))

if amounts and st.button("Submit", type="primary"):
    try:
        total = sum(parse_manual_amount(value) for _, value in amounts)
        st.success(f"{len(amounts)} donation(s) ready, total {total:,.2f} EGP")
    except ValueError as e:
        st.error(f"Please enter a valid amount for every image: {e}")
