"""
The MODEL layer contains pure data structures.
It has NO knowledge of the GUI (Qt) or the rendering (matplotlib).
It deals with records, the forest built from them and the chart settings.
"""
