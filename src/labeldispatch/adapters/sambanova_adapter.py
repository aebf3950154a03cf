from .openai_adapter import ChatCompletionsAdapter


class SambaNovaAdapter(ChatCompletionsAdapter):
    provider_id = "sambanova"
    display_name = "SambaNova"
    default_base_url = "https://api.sambanova.ai/v1"
    default_model = "Meta-Llama-3.1-70B-Instruct"
    fixed_params = {"top_p": 0.1}
